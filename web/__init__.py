"""
HTTP interface for the rental application workflow.
"""
