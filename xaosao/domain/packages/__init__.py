"""Packages Domain - membership plans paid from the wallet"""
