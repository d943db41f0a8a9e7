"""
Minion
======

Support request triage: extracts versions, product names and stack-trace
signatures from user reports and resolves them to known Jira tickets.
"""

__version__ = "1.0.0"
