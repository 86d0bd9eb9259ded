"""Tetsu Kasuya 4:6 pour-over calculator and brew timer."""
