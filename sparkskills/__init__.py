"""SparkSkills - a self-improving skill library for LLM conversations."""

__version__ = "0.1.0"
