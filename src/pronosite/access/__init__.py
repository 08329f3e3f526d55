"""Access control - visibility gate and admin checks."""
