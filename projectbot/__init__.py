"""
Project Board Bot

A webhook receiver that keeps a pull request's card on the repository's
project board in the "In review" column once the pull request is opened.
"""

__version__ = "1.0.0"
