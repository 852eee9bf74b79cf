"""
Configuration, adapters and FastAPI dependencies
"""
