"""
Worker module.
Contains the consumer loop and the item handler registry.
"""
