"""Test fixtures package"""
