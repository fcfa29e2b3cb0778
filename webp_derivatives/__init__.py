"""
WebP derivative pipeline — canonical and width-scaled WebP copies of images
written to an S3 bucket.
"""
__version__ = "1.0.0"
