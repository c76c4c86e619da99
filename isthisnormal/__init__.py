"""Backend for the "Is This Normal?" symptom-inquiry app."""

__version__ = "0.1.0"
