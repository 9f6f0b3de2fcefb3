"""
mcq-bank: practice-quiz session engine.

Packages:
- core: shuffling, key-value persistence, notification channel
- quiz: question models, bank store, replenishment, explanations
- study: round/session state machine and learner progress
- integrations: external question sources (HTTP)
- cli: terminal front-end
"""

__version__ = "1.0.0"
