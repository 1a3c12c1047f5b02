"""
Service Adapters

I/O layer components that wrap external systems:
- Mail transports (SMTP, Gmail API, dry-run)
- Submission storage (disk copies)
- Database (submission audit log)

These adapters provide clean interfaces and isolate external dependencies.
"""

__all__ = ['mailer', 'storage', 'database']
