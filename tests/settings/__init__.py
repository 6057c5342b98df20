# Settings Test Suite
