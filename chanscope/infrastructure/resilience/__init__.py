"""API Resilience Implementations.

Contains the bounded retry policy used for every upstream call and an
optional client-side rate limiter.
Bounded Context: API Resilience
"""
