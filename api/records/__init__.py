"""
Records feature: listing, creation, value-band matching and category
intersection over the `records` table.
"""
