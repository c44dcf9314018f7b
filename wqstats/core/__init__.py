"""Core primitives: samples, the trailing-window sweep, statistic functions.

A window for the sample at time t holds every sample in [t - W, t]. Windows
that start before the first observation are left undefined so that early
estimates are never computed from a short history.
"""
