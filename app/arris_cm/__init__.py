"""Scraper for the SB8200's web UI (and, going by screenshots of other SB models, probably its siblings).

The one public entry point is `arris_cm.scrape.scrape()`; everything model specific about where things sit on
the pages lives in `arris_cm.layout`, so another firmware should only need a new PageLayout.
"""
