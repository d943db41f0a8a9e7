"""
Shared Kernel Module
====================

Shared infrastructure used by the triage module: structured logging and
HTTP middleware.

DO NOT add triage business logic to the shared kernel.
"""
