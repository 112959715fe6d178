"""Test suite for schemaform.

This package contains tests for:
- Local $ref resolution (pointers, cycles, diamonds, deep resolution)
- Format checks (built-in and caller-supplied)
- The boolean evaluator and the diagnostic evaluator, and their agreement
- Schema flattening and compilation against a recording builder
- The SchemaValidator facade
"""
