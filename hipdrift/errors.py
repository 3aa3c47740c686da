"""
hipdrift — Exception Hierarchy
==============================
HipDriftError (base)
└── ConfigurationError - bad layer/pathway name, slot/shape mismatch,
                         invalid parameter, unknown experiment id

Configuration errors are fatal and never retried.
"""


class HipDriftError(Exception):
    """Base exception for all hipdrift errors."""


class ConfigurationError(HipDriftError):
    """Invalid configuration: unknown names, mismatched shapes, bad values."""
