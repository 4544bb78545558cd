"""The Librarian - Services Package

This package contains the transport layer:
- API gateway client (token attachment, refresh, replay)
- Retrying HTTP client
- Request pipeline decisions
- Session token storage
"""
