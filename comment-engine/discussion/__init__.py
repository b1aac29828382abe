"""
Shared foundation for the comment engine: configuration, logging, errors and
wikitext text utilities.
"""
