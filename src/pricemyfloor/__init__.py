"""Price My Floor lead marketplace API"""
