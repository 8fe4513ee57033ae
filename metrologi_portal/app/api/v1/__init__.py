"""
Version 1 of the Metrologi portal API.
"""
