"""
External service integrations: supplier feeds and the FX rate API.
"""
