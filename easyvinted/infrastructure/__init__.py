# Infrastructure Package
"""
Implementations of the domain interfaces: Supabase storage and credential protection.
"""
