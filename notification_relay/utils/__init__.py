"""Utility modules shared by the broker and delivery layers."""
