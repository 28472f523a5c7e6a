"""EasyVinted publisher.

Browser-automation worker that takes articles drafted in EasyVinted and
publishes them to the Vinted marketplace through its listing form.
"""

__version__ = "0.1.0"
__author__ = "EasyVinted"
