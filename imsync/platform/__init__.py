"""Platform adapters: focus detection, layout reset, host toggle, system commands."""
