"""Meme board web application."""
