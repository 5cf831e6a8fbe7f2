from .xlink_out import XLinkOut, XLinkOutProperties

__all__ = ["XLinkOut", "XLinkOutProperties"]
