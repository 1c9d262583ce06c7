"""
Report forms - fixed-template overlay rendering

Package layout:
- config/     runtime configuration and coordinate-map (layouts.yaml) loading
- models/     report records, measurement payloads, render outcomes
- doc_gen/    derivation, wrapping, pagination and the PDF/XLSX renderers
- pipeline/   render service (document-type dispatch, outcome wrapping)
- cli.py      command line entry point (render / sheet / meta / calibrate)
"""

__version__ = "0.1.0"
