"""Kinds, options, capabilities, errors, and input classification."""
