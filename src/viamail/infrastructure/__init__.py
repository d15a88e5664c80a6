"""Infrastructure layer — database, mailbox and SMTP transport.

This layer depends on stdlib and third-party libs (SQLAlchemy).
It must never import from services, commands, or output.
"""
