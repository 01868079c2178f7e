"""
Slash commands and the calculator expression evaluator.
"""
