"""Bet That: peer-to-peer social wagering API."""
