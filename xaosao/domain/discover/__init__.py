"""Discover Domain - model browsing, matches and public model profiles"""
