"""Core pipeline shared by the Jira tools."""
