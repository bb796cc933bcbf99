"""WAV container codec and offline rendering."""
