"""
Triage Module
=============

Turns a customer's free text into a reply and a hand-off decision.

Layers:
- domain: the Verdict and the LLM prompt
- application: the Classifier Gateway
- infrastructure: classifier backends and the audit log
"""
