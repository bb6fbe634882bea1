"""
meshvis - topology exchange for batman-adv meshes over an alfred daemon.

Server instances publish their local neighbor and client tables as binary
records; client instances collect every published record and render the
mesh topology as dot, json, jsondoc or netjson.
"""

__version__ = "2015.1"
__author__ = "meshvis contributors"
