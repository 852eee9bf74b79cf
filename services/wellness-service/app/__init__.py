"""
Wellness service application package
"""
