"""Domain packages: providers, appointments, prescriptions and scheduling"""
