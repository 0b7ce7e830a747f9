"""Flask JSON API over the module editor canvas."""
