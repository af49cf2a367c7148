"""Price comparison package.

Contains the competitor scrape orchestrator, the comparison service that
combines it with the result cache, and the HTTP handlers exposing both.
"""
