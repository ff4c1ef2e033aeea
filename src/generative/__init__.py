"""Generative-text backend clients."""
from src.generative.client import GenerativeBackend, HttpGenerativeBackend, create_backend

__all__ = ["GenerativeBackend", "HttpGenerativeBackend", "create_backend"]
