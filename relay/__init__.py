"""Cross-platform authentication handoff relay."""
