"""
Business logic for wellness service
"""
