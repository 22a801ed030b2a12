"""Bridge between a HylaFax-style spool directory and a webhook fax transport."""

__version__ = "0.1.0"
