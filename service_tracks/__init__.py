"""
Recent Tracks service for the Last.fm read-through snapshot API.
"""
