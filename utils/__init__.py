"""Helpers shared by the sync code"""
