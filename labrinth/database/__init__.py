"""Data models for projects, versions, threads, reports and notifications, with base62 ids."""