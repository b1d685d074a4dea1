"""TaskFlow: todo management with AI-assisted Eisenhower matrix categorization."""

__version__ = "0.1.0"
