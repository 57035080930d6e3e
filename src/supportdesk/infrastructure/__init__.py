"""
Infrastructure Layer
=====================

Technical adapters shared by the bounded contexts:
- database: async engine and session lifecycle
- llm: chat completion clients used by triage
"""
