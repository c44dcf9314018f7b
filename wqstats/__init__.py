"""Rolling water-quality statistics over irregularly sampled series.

Compliance assessments for recreational and drinking water are usually stated
over a trailing period: a geometric mean over the last few years of samples,
or the fraction of samples exceeding a criterion in that period. This package
implements one configurable time-windowed aggregation and the statistic
functions that plug into it.
"""

__all__ = [
    "config",
    "core",
    "data",
    "utils",
    "cli",
]
