"""Chiffrement des secrets stockés."""
