"""
Expense Assistant - Source Package

A single-page expense submission form where employees can let an AI
fill the form in from a sentence or a receipt photo.

DESIGN PRINCIPLES:
1. AI suggests → Human reviews → Submit sends
2. Employee identity is never touched by AI output
3. Fail early, fail visibly
4. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Expense Assistant Team"
