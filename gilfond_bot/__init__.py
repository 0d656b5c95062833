"""Files requests for new flats on gilfondrt.ru and keeps their priorities in order."""

__version__ = "0.1.0"
