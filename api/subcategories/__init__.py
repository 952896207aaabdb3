"""
Subcategories feature: newest-first listing and creation.
"""
