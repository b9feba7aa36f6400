"""Course platform achievements (conquistas) service"""
