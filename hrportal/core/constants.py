"""
Service-wide constants
"""

SERVICE_NAME = "hrportal-workflow"
