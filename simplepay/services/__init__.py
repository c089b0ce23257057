"""
Services.

Node connection, wallet synchronization, payment requests and matching.
"""
