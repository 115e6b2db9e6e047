"""Classify unread IMAP mail with an LLM and mirror categories as folders."""

__version__ = "0.1.0"
