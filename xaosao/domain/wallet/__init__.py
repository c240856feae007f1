"""Wallet Domain - balances, top-up requests, transaction history and escrow"""
