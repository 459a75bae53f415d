"""
FBR Order Editor.

Pricing, tax derivation and FBR invoice preparation for editing existing
sales orders.
"""
