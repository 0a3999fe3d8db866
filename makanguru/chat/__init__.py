"""
Chat session layer.

Responsibilities:
- Track the selected persona and model preset.
- Rate-limit messages per session.
- Route each message through the catalog and the recommendation orchestrator.
"""
