"""
Core modules for nanobanana.

This package contains the core business logic for:
- Configuration management
- Base image ingestion
- The Gemini edit request and its retry policy
- Local history and notifications
- The editor session that ties them together
"""
