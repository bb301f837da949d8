"""Spaced-repetition review scheduling for flashcard decks."""
