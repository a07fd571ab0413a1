"""
VCSFlow - HTTP API
"""
