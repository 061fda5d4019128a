"""
Donation Settings Test Suite

Tests for:
- Typed key-value stores and write batches
- Currency detection (codes, locales, phone numbers)
- Live values
- DonationsValues accessors
- Donation API endpoints

Run tests with:
    pytest tests/ -v
"""
