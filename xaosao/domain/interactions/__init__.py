"""Interactions Domain - like/pass toggles and friend contacts"""
