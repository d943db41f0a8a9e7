"""
Triage Module
=============

Bounded context for support request triage.

Responsibilities:
- Extract versions, product names and stack-trace signatures from text
- Decide between the stack-trace path and the guided path
- Resolve extracted facts into known Jira tickets
- Answer community forum posts with the result
"""
