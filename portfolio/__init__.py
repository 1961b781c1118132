"""
Portfolio Backend

REST backend for a personal portfolio site:
1. Projects, blog posts and skills with read-through Redis caching
2. Page-view tracking for project and blog detail pages
3. Admin analytics (top content, referrers, countries, daily histograms)
4. Retention sweeps for the view-event log
"""

__version__ = "0.1.0"
