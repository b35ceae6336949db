"""
Analysis package for the State Award-Wins Maps

Map rendering and the end-to-end pipeline.
"""
