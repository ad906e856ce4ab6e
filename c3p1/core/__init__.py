"""Core configuration, logging, and shared utilities for c3p1."""
