"""Sunday Picks API backend."""
