"""
Tests for the LLM providers and codecs.
"""
