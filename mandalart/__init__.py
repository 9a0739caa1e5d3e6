"""
AI Mandalart: a guided wizard that turns one goal into a 9x9 Mandalart.

Packages:
    - modules: session data model, state machine and grid layout
    - services: session store, Redis persistence, LLM suggestions
    - api: FastAPI application exposing the wizard
"""

__version__ = "0.1.0"
