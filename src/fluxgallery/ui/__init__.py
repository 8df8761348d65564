"""Gradio gallery UI and the per-session gallery controller."""
