"""
Read NSI CT-scanner ``.nsipro`` project files.

The ``.nsipro`` format is a quasi-XML dialect written by NSI efX-CT software.
This package repairs it into well-formed markup, builds a typed dictionary
tree from it, and derives a normalized summary of the scan (the
``derived_fields`` section) suitable for tabular export.

Subpackages:

- extractors: the parsing pipeline and field derivations
- exporters: flattening and writing of parsed records
- utils: logging, dictionary, time and file helpers
- cli: the ``nsipro`` command line
"""
