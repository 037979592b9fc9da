"""
Example workflows and demos.
"""
