"""
Test suite for sparse dictionary learning.

Covers the row filter, objective, coding step, dual Newton dictionary step
and the alternating optimizer end to end.
"""
