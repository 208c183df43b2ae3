"""Propagation of conversation events to active readers."""
