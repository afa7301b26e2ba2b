"""tuidb - A vim-modal terminal client for SQLite, MySQL and MariaDB."""

__version__ = "0.1.0"
