"""
Customer photos: compression, bucket/row lifecycle, gallery and bucket usage.
"""
