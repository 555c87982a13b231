"""
Services Layer

Pure scheduling and qualification logic that:
- Accepts engine inputs (participants, category and tournament settings, results)
- Returns engine outputs (plans, schedules, qualification decisions, diagnostics)
- Does NOT perform I/O (match_store is the only module touching a Session)
- Does NOT keep module-level mutable state
"""
