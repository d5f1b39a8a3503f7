"""Course catalog: courses, modules and lessons."""
