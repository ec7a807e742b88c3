"""Core configuration for igstream"""
