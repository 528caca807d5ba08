"""File storage backends: local directory, S3-compatible bucket and Backblaze B2."""