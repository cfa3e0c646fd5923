"""Human and machine rendering of service results."""
