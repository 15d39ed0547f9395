"""QueryMaster: practice Django ORM and raw SQL side by side with AI grading."""

__version__ = "0.1.0"
