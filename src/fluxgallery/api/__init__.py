"""Flux Gallery — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request/response
models, and the prompt enhancement logic.

Modules
-------
main
    FastAPI application with all route handlers, the mounted gallery UI, and
    the ``main()`` CLI entry point.
models
    Pydantic models for API request and response validation.
prompt_enhancer
    Completion-backed prompt enhancement with refusal and length fallbacks.
"""
