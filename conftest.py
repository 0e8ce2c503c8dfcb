# The library modules carry their own tests; keep the build scripts out.
collect_ignore = ["setup.py", "pavement.py"]
