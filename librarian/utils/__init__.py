"""Helpers for user-facing messages and CLI output."""
