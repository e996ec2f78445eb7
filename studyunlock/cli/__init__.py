"""Command line interface for studyunlock."""
