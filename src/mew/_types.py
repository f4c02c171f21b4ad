"""Shared type definitions for mew."""

from typing import Literal

# Site-relative URL path (e.g., "/about", "/2023/05/01/hello")
type UrlPath = str

# Post tag name
type Tag = str

# What kind of watched file changed
type ChangeCategory = Literal["config", "pages", "posts", "templates"]

# Reload coordinator state
type ReloadState = Literal["idle", "accumulating", "rebuilding"]
