"""Workbench agent: delegate tracked tasks to a tool-using LLM agent."""

__version__ = "0.1.0"
