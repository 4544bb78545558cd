"""The Librarian - Client Package

This package contains the client-side modules for The Librarian backend:
- API gateway client and request pipeline (services/)
- Authentication session (auth.py)
- Library-management endpoints (library.py)
- CLI interface (main.py)
- Response and request models (models.py)
"""

__version__ = "1.0.0"
