"""Codeswitch: mixed-language annotation and translation service."""

__version__ = "1.0.0"
