"""
Test Suite for the Market Statistics Workbench

Package tests live beside each package (analysis/tests, ingestion/tests,
reports/tests, pipeline/tests). This directory holds the shared CSV
fixtures under tests/fixtures.
"""
