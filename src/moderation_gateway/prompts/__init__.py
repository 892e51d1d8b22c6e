"""
System prompts for the moderation judge.

Prompts are stored as markdown files in this directory and loaded via
utils.prompts.load_prompt().
"""
