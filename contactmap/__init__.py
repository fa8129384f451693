"""People, contacts and phone numbers mapped to MongoDB documents."""

__version__ = "0.1.0"
