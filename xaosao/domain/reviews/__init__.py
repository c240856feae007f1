"""Reviews Domain - customer reviews of models"""
