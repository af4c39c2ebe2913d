"""Conversation turn handling and reply generation."""
