"""
Renderer app.

Pure rendering of a site content model into the static file set
(index.html, styles.css, script.js).
"""
