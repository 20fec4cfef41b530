"""
Core Package

Exchange-agnostic building blocks shared by the REST and streaming clients:
- Settings: immutable client configuration
- Result / errors: uniform success/error contract
- Schemas: Pydantic models for requests, channels and order books
"""
