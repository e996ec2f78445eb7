"""studyunlock: concept matching, flashcard unlocking and review scheduling."""

__version__ = "1.0.0"
