"""Service layer — back-office operations and the command protocol engine.

Services may import from domain, infrastructure, and the plain-text
formatters in ``output.formatters``. They must never import from commands.
"""
