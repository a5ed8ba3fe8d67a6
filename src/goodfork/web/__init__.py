"""
GoodFork Web API.
"""
