"""Adapter package for I/O and collaborator matchers.

Purpose:
    Concrete implementations around the pure handler core: the HTTP
    transport and its typed errors, status-code matchers, declarative rule
    files and the console alert sink.

Dependencies:
    ``requests`` (transport) and ``pydantic`` (rule file validation).
"""
