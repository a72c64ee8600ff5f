"""Shared data model, errors and job plumbing."""
