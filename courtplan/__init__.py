"""courtplan: timetable and qualification engine for multi-court tournaments."""

__version__ = "0.1.0"
