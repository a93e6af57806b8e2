"""Color, font and theme handling for design customization requests."""
