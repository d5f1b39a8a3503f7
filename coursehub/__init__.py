"""CourseHub API - online course platform backend."""
