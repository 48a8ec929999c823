"""Enable and disable PHP configuration fragments for a phpenv-managed version."""

__version__ = "1.0.0"
