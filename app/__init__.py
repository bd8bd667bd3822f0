"""
Provider Relay: Least-used routing across AI inference providers

Routes text-completion requests across interchangeable backends (OpenAI,
Groq) under independent per-provider rate limits, tracking usage and
putting providers into cooldown after credential failures.
"""

__version__ = "0.1.0"
