"""
Shared Infrastructure
=====================

Low-level technical concerns shared by every module:
- Structured logging setup
- Latency measurement helpers
"""
