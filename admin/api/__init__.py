"""Admin HTTP API"""
