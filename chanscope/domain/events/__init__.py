"""Domain Events: Represents significant occurrences within the domain.

Used for decoupling and potentially for triggering side effects (e.g., logging).
"""
