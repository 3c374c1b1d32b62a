"""Carapace, a stateless STUN Binding server
"""
__version__ = '0.1.0'
