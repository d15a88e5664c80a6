"""viamail — email subject-line command channel for a transport back office."""

__version__ = "0.1.0"
