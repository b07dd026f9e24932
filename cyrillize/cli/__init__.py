"""
Command-line front-ends: ``cyrillize-train``, ``cyrillize-translate`` and
``cyrillize-build-ambiguity``.
"""
