# -- Metrics Package -- #

'''
Point set similarity metrics.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.metrics.expectationMetric import ExpectationPointSetMetric
