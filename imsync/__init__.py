"""imsync — keeps an editor's input method in step with the desktop layout switcher."""
