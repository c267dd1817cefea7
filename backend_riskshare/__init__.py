"""
Backend RiskShare - personal exposure risk tracking and peer risk exchange.

Turns logged activities and cohabitations into a daily contagiousness series
and shares it with trusted contacts as an encrypted, sealed risk certificate.
"""

__version__ = "0.1.0"
